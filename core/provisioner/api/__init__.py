"""HTTP API for driving provisioning from a setup front end."""
