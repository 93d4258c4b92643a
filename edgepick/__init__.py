"""edgepick: find the fastest edge addresses of an anycast CDN."""

__version__ = "0.1.0"
