"""
Login records module: append-style LOGIN/LOGOUT activity per user.
"""
