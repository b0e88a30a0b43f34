"""PinchDraw - Stable drawing commands from noisy hand-landmark streams."""

__version__ = "0.1.0"

from pinchdraw.landmarks import FrameInput, HandLandmark, LandmarkShapeError
from pinchdraw.filters import AdaptiveFilter, FilterBank, FilterParams
from pinchdraw.smoothing import SmoothingConfig, SmoothingMode, StrokeSmoother
from pinchdraw.classifier import GestureClassifier, is_fist, is_pinching, palm_center
from pinchdraw.commands import CommandType, DrawCommand, OutputSink
from pinchdraw.canvas import StrokeCanvas, Stroke
from pinchdraw.state_machine import GestureSession, GestureState, GestureStateMachine, PenState
from pinchdraw.config import EngineConfig, PRESETS
from pinchdraw.pipeline import DrawingPipeline, PipelineStats
from pinchdraw.recorder import SessionPlayer, SessionRecorder
from pinchdraw.profiler import PipelineProfiler
