"""
Mock integration clients.

These clients return fake (but realistic) responses without calling any external API.
They are used when:
- Gateway / flight data / auth / email credentials are not configured
- We want to test booking and payment flows end-to-end without external dependencies

Important:
- Mock clients must follow the SAME interface as real HTTP clients.
- Mock clients should return data shaped according to jetset/integrations/contracts/*

Switching to real:
Set INTEGRATIONS_MODE=real (or provide credentials) and jetset/api/main.py
wires the clients/real_http/* implementations instead.
"""
