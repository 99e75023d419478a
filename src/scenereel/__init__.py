"""Scene reel: frame-accurate rendering of narrated scene slideshows."""

__version__ = "0.1.0"
