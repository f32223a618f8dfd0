"""Configuration defaults and environment-driven settings.

Settings live in ``reliable_stream.config.settings``; they are not imported
here because the retry policy itself depends on ``constants``.
"""
