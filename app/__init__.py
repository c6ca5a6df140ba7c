"""
Face Identity & Emotion Analytics Service

A facial identification and emotion analytics API using:
- NumPy for Euclidean nearest-neighbour matching of face descriptors
- Pure aggregation functions for emotion statistics and timelines
- FastAPI for RESTful API
- SQLAlchemy (async) for the attendance log
"""

__version__ = "1.0.0"
