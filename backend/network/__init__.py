"""Fiber topology engine: splice matrix, path tracing, proximity and map encoding."""
