"""Calendar Hub: Google sign-in and calendar proxy backend."""

__version__ = "1.0.0"
