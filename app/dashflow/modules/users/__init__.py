"""
Users module.

- Registration/creation with password hashing and duplicate-email guard
- List, detail, partial update (email is immutable), delete
- Credential checks for the auth blueprint (email or mobile number)
"""
