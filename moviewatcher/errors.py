"""Exception hierarchy for the movie watcher."""


class MovieWatcherError(Exception):
    """Base class for errors raised by the watch engine."""


class ScheduleFetchError(MovieWatcherError):
    """The schedule for a movie could not be retrieved."""

    def __init__(self, movie_id: int, message: str):
        super().__init__(f"movie {movie_id}: {message}")
        self.movie_id = movie_id


class UpstreamUnavailable(ScheduleFetchError):
    """Transport failure or non-success status from the provider."""


class MalformedResponse(ScheduleFetchError):
    """Provider payload could not be interpreted as a schedule."""


class DeliveryFailure(MovieWatcherError):
    """A notification could not be delivered to a recipient."""


class WatcherFileError(MovieWatcherError, ValueError):
    """The watcher definition file is missing or invalid."""
