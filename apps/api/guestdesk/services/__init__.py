"""Service layer - business logic shared by routers, the worker and the CLI."""
