"""
Jobs package - periodic dual sync and cache metric retention
"""
