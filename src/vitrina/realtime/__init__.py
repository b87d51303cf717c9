"""Real-time infrastructure — one WebSocket per browser tab.

Learn: Events flow in both directions over the same socket:
1. Browser → `update-products` / `update-chat` → BroadcastHub
2. BroadcastHub → `products` / `messages` → every connected browser

All state (open sockets, the product list) lives in this process. Two
workers in cluster mode have two independent hubs.
"""
