"""depfetch: Maven/Android dependency resolution and artifact download."""

__version__ = "0.1.0"
