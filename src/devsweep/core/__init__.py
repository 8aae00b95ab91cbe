"""Detection, scanning, filtering and cleanup."""
