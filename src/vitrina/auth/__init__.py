"""Authentication: password hashing, server-side sessions, request identity.

Learn: a browser gets an opaque session token in a cookie. The token maps
to a small dict held by the server (memory or Redis) containing only the
username and the visit counter. Every request rehydrates the full user
record from the document store by that username.
"""
