"""
Web application package for the hybrid chess engine.

Provides a FastAPI JSON API (POST /api/move) that runs the hybrid move
selector for a given FEN and engine mode.
"""
