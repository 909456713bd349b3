"""Training loop, losses, metrics and run pipelines."""
