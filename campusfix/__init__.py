"""CampusFix: campus issue reporting, prioritization and resolution workflow."""

__version__ = "1.0.0"
