"""Application layer – upload security, scanning, storage and processing."""
