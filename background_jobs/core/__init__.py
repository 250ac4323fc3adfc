"""Configuration for the background job scheduler."""
