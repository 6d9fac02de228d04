"""Authentication and authorization.

Learn: Users sign in with email/password and get a JWT access/refresh pair.
- password.py: argon2id hashing (bcrypt hashes still accepted, then upgraded)
- jwt.py: issuing, verifying and rotating token pairs
- sessions.py: the single stored refresh token per user
- dependencies.py: the bearer-token gate in front of protected routes
- ownership.py: id + author filters for every mutation
"""
