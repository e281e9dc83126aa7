"""rails-template -- applies an opinionated setup to a new Rails application."""

__version__ = "0.1.0"
