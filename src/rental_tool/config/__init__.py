"""Configuration subpackage - settings and default rate tables."""
