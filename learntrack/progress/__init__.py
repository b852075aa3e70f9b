"""Learner progress, module tracking and synchronization."""
