"""Relay service: hides the model credential and streams articles as events."""
