class TTSError(Exception):
    """A single speech-synthesis attempt failed (network, status, decode)."""


class ImageLoadError(Exception):
    """A source image could not be fetched or decoded."""


class ScrapeError(Exception):
    pass


class WavEncodeError(RuntimeError):
    pass


class EncoderError(RuntimeError):
    """ffmpeg could not be loaded or rejected its inputs."""


class GenerationError(RuntimeError):
    """Fatal pipeline failure; the message is meant for the end user."""
