"""
LoadRush Analytics

Live revenue, trend, usage and insight analytics over the LoadRush
freight marketplace's load and subscription records.
"""

__version__ = "0.1.0"
