"""Front service: HTTP surface and backend client."""
