"""Shared helpers for mnist_training."""
