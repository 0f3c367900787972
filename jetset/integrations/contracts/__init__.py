"""
Contracts (data models).

This folder defines the request/response shapes for external integrations:
- Hosted checkout session requests and gateway lifecycle rules
- Flight search parameters
- Auth users/sessions mirrored to the browser
- Outgoing email messages

Both mock and real HTTP clients implement the interfaces declared here, so
endpoints and services never depend on a vendor's raw payloads.
"""
