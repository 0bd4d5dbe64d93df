"""Journal Coach - engagement and progression engine for a journaling app"""

__version__ = "1.0.0"
