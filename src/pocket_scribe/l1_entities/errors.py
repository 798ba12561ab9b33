"""Domain error types.

Every failure the pipeline can report is a distinct ``PipelineError`` subclass.
None of them is retried automatically; the caller decides whether to run the
whole operation again.
"""


class PipelineError(Exception):
    """Base class for all stage-scoped pipeline failures."""


class ModelNotFoundError(PipelineError):
    """Raised when a model artifact cannot be resolved to a local file."""


class ModelLoadFailedError(PipelineError):
    """Raised when model weights exist but could not be loaded."""


class ModelNotLoadedError(PipelineError):
    """Raised when inference is requested before the model handle exists."""


class ContextCreationFailedError(PipelineError):
    """Raised when a generation context cannot be allocated."""


class TokenizationFailedError(PipelineError):
    """Raised when the prompt cannot be tokenized."""


class DecodeStepFailedError(PipelineError):
    """Raised when a prompt chunk or single-token decode step fails."""


class EmptyTranscriptionResultError(PipelineError):
    """Raised when transcription produced no text."""


class EmptySummaryResultError(PipelineError):
    """Raised when summarization produced no text."""


class NoAudioTrackError(PipelineError):
    """Raised when the source file contains no audio."""


class UnsupportedFormatError(PipelineError):
    """Raised when no available decoder understands the source file."""


class ConversionFailedError(PipelineError):
    """Raised when reading, resampling or writing audio fails mid-conversion."""


class MicrophonePermissionDeniedError(PipelineError):
    """Raised when no usable input device is available for recording."""
