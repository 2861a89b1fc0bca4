"""Configuration, allocation backends, swap locations, process state and message stores
for a process-as-a-service runtime."""

__version__ = "0.1.0"