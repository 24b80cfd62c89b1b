"""Logging and metrics for aftersales."""
