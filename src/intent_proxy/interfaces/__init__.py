"""Inbound adapters exposing the proxy core."""
