"""Vitrina — product showcase with live chat.

Session-authenticated pages plus a WebSocket channel that broadcasts the
product list and chat history to every connected browser.
"""

__version__ = "0.1.0"
