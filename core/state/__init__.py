"""Application state operations and the store that owns them"""
