"""
Value models shared across the refresh engine.
"""
