"""Authentication services: password hashing and signed sessions."""
