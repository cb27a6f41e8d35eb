from __future__ import annotations

import unittest

import numpy as np

from livechart.downsample import downsample, lttb_indices
from livechart.series import Entry


def _entries(ys) -> list[Entry]:
    return [Entry(index=i, x=float(i), y=float(v), ref=[i, v]) for i, v in enumerate(ys)]


class DownsampleTests(unittest.TestCase):
    def test_passthrough_returns_input_object(self) -> None:
        entries = _entries(range(5))
        self.assertIs(downsample(entries, 0), entries)
        self.assertIs(downsample(entries, None), entries)
        self.assertIs(downsample(entries, 5), entries)
        self.assertIs(downsample(entries, 9), entries)

    def test_output_size_and_endpoints(self) -> None:
        rng = np.random.default_rng(7)
        entries = _entries(rng.normal(size=257))
        for target in (2, 3, 4, 10, 100, 255, 256):
            out = downsample(entries, target)
            self.assertEqual(len(out), target)
            self.assertIs(out[0], entries[0])
            self.assertIs(out[-1], entries[-1])
            indices = [e.index for e in out]
            self.assertEqual(indices, sorted(set(indices)))

    def test_target_one_below_length_does_not_crash(self) -> None:
        entries = _entries([0, 3, 1, 4, 1, 5, 9, 2, 6, 5])
        out = downsample(entries, 9)
        self.assertEqual(len(out), 9)

    def test_keeps_isolated_peak(self) -> None:
        ys = np.zeros(100)
        ys[37] = 50.0
        out = downsample(_entries(ys), 10)
        self.assertIn(37, [e.index for e in out])

    def test_selection_is_deterministic(self) -> None:
        rng = np.random.default_rng(11)
        entries = _entries(rng.normal(size=500))
        first = [e.index for e in downsample(entries, 40)]
        second = [e.index for e in downsample(entries, 40)]
        self.assertEqual(first, second)

    def test_indices_reject_mismatched_lengths(self) -> None:
        with self.assertRaises(ValueError):
            lttb_indices(np.arange(5.0), np.arange(4.0), 3)

    def test_indices_for_small_targets(self) -> None:
        x = np.arange(6.0)
        self.assertEqual(lttb_indices(x, x, 2).tolist(), [0, 5])
        self.assertEqual(lttb_indices(x, x, 1).tolist(), [0, 5])
        self.assertEqual(lttb_indices(x[:0], x[:0], 3).tolist(), [])


if __name__ == "__main__":
    unittest.main()
