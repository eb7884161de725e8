"""Ports connecting the domain to storage, feeds and the filesystem."""
