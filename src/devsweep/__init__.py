"""devsweep: find and clean build artifacts of development projects."""

__version__ = "0.1.0"
