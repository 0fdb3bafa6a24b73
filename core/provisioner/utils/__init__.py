"""Utility helpers shared across the provisioner."""
