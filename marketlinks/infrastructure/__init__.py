"""Infrastructure layer.

Configuration, database engine, structured logging, ORM models for
accounts and links, the link store repositories and the simulated
marketplace data source.
"""
