"""Domain layer for meal capture.

Pure business logic for the meal photo upload and analysis session,
decoupled from HTTP transports and host UI.
"""
