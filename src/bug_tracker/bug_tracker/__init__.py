"""Bug Tracker package.

This package is organized by feature modules (users, bugs, comments) with a
thin Flask controller layer over service/repository layers. Security
primitives (password hashing, one-time secrets, session tokens) live in
``security`` and outbound mail in ``mail``.
"""
