"""Webhook resources that create and delete registry entries."""
