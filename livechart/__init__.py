from livechart.bar import BarChart
from livechart.chart import Chart, RenderResult
from livechart.collector import EXPIRATION_MARGIN_MS, CollectionPass, QueuedCollector, SweepCollector
from livechart.config import ChartOptions, load_options
from livechart.downsample import downsample, lttb_indices
from livechart.errors import ChartDataError, ChartError, ChartInvariantError
from livechart.identity import IdentityArena
from livechart.line import LineChart
from livechart.locate import ProbeHit, RenderSnapshot, find_nearest_index, probe_overlay
from livechart.reconcile import Layout, Reconciler
from livechart.scales import DataLimits, PlotArea, ScaleMapper
from livechart.scene import RecordingScene, SceneGraph
from livechart.scheduler import IdleScheduler
from livechart.series import Datum, Entry

__all__ = [
    "BarChart",
    "Chart",
    "CollectionPass",
    "ChartDataError",
    "ChartError",
    "ChartInvariantError",
    "ChartOptions",
    "DataLimits",
    "Datum",
    "EXPIRATION_MARGIN_MS",
    "Entry",
    "IdentityArena",
    "IdleScheduler",
    "Layout",
    "LineChart",
    "PlotArea",
    "ProbeHit",
    "QueuedCollector",
    "Reconciler",
    "RecordingScene",
    "RenderResult",
    "RenderSnapshot",
    "ScaleMapper",
    "SceneGraph",
    "SweepCollector",
    "downsample",
    "find_nearest_index",
    "load_options",
    "lttb_indices",
    "probe_overlay",
]
