"""Shared helpers for driving the page forms."""

PASSWORD = "s3cret-pass"


async def register(client, username="alice", password=PASSWORD, email=None):
    """POST the registration form; returns the response (not followed)."""
    return await client.post(
        "/register",
        data={
            "username": username,
            "password": password,
            "email": email or f"{username}@example.com",
        },
    )


async def login(client, username="alice", password=PASSWORD):
    return await client.post(
        "/login",
        data={"username": username, "password": password},
    )
