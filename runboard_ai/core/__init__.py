"""Shared settings, logging and monitoring for Runboard-AI."""
