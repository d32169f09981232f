"""
routeguard.api.handlers

Handler groups served through the dispatcher.
"""
