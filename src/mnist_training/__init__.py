"""Minibatch training harness for CSV-encoded MNIST-style image datasets."""

__version__ = "0.0.1"
