class SlidesError(Exception):
    """Base class for all mdslides errors."""


class ServerStartError(SlidesError):
    """The local slides server could not bind its listening socket."""


class PortInUseError(ServerStartError):
    """The configured port is already bound by another process."""

    def __init__(self, port: int):
        super().__init__(f"Port {port} is already in use.")
        self.port = port


class ServerStopError(SlidesError):
    """Closing the listening socket failed."""


class GenerationError(SlidesError):
    """Reading, transforming or writing a note's slides failed."""


class NotEligibleError(SlidesError):
    """The note is not tagged for slide generation."""
