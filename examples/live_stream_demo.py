from __future__ import annotations

import logging
import math
import os

import numpy as np

from livechart import BarChart, ChartOptions, IdleScheduler, LineChart, RecordingScene


class SimulatedClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def main() -> None:
    logging.basicConfig(level=os.getenv("LIVECHART_DEMO_LOG", "INFO"))
    rng = np.random.default_rng(int(os.getenv("LIVECHART_DEMO_SEED", "42")))
    frames = max(1, int(os.getenv("LIVECHART_DEMO_FRAMES", "240")))
    window = max(16, int(os.getenv("LIVECHART_DEMO_WINDOW", "600")))
    frame_ms = float(os.getenv("LIVECHART_DEMO_FRAME_MS", "16"))

    clock = SimulatedClock()
    scheduler = IdleScheduler(clock=clock)
    options = ChartOptions(padding=(8.0, 8.0, 24.0, 40.0), transition_duration_ms=250.0)

    line_scene = RecordingScene()
    line = LineChart(options, scene=line_scene, scheduler=scheduler, resample_threshold=120)
    line.set_size(960, 360)
    bar_scene = RecordingScene()
    bars = BarChart(options, scene=bar_scene, scheduler=scheduler)
    bars.set_size(960, 240)

    # Both series are mutated in place so existing points keep their elements.
    ticks: list[list[float]] = []
    volume: list[dict[str, float | str]] = []
    x = 0.0
    for _ in range(frames):
        clock.now += frame_ms
        x += 0.1
        y = 0.72 * math.sin(2.2 * x) + 0.31 * math.cos(0.8 * x) + float(rng.normal(0.0, 0.03))
        ticks.append([x, y])
        change = float(rng.normal(0.0, 1.0))
        volume.append({"width": 1.0, "y": change, "color": "#3e95ff" if change >= 0 else "#ff6b6b"})
        if len(ticks) > window:
            del ticks[0]
        if len(volume) > 40:
            del volume[0]

        line.render(ticks)
        bars.render(volume)
        scheduler.run_idle()
        scheduler.run_due()

    clock.now += 5000.0
    scheduler.run_idle()

    hit = line.nearest(480.0)
    print(f"line: {line.live_count()} markers live, {len(line_scene.nodes)} nodes, last {line.last_result}")
    print(f"bars: {bars.live_count()} bars live, {len(bar_scene.fills)} fills, last {bars.last_result}")
    if hit is not None:
        print(f"nearest to x=480: index={hit.index} x={hit.entry.x:.2f} y={hit.entry.y:.3f}")


if __name__ == "__main__":
    main()
