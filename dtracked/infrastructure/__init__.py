"""Dtracked Infrastructure - position sources, wake lock platforms and local stores."""
