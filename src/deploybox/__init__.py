"""deploybox - disposable deployer development containers."""

__version__ = "0.3.0"
