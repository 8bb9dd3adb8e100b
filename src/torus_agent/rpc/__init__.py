"""Route registration, request dispatch and API documentation."""
