"""Fakes standing in for audio hardware and child processes."""
