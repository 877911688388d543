"""Surfaces the feed exposes: websocket relay, metrics, liveness."""
