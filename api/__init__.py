"""
REST API package for the Business Card Text Parser.
"""
