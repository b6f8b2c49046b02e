"""TrackPlay: watch history and recommendations from Trakt, with TMDb artwork."""

__version__ = "0.1.0"
