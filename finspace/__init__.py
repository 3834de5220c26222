"""fin-space: keeps incoming and archive disks above their free space thresholds."""

__version__ = "0.1.0"
