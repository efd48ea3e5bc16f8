"""Service layer for jellycards."""
