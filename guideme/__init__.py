"""
Guide Me ABC web service.

A FastAPI application serving the public business directory for Aruba,
Bonaire and Curaçao, the owner dashboard, and the admin and godmode tooling,
with store, media and billing backends behind small client abstractions.
"""
