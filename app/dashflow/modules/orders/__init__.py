"""
Orders module.

- Create (order number generated when omitted), detail, status update, delete
- Full list served from the tagged TTL cache ("orders")
- Server-side search: free text, field filters, sort, pagination
"""
