"""
NeighborLink server-side API.

A FastAPI service holding the authenticated handlers that sit between the
mobile/web client, the managed database and the paid third-party APIs
(payments, SMS, email, push).
"""
