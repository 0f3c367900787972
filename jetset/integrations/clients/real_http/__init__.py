"""
Real HTTP integration clients.

These clients talk to the external systems over HTTP (httpx):
- arcpay.py: hosted-checkout payment gateway
- amadeus.py: flight offers, locations and analytics
- hosted_auth.py: hosted auth backend (sign-in, sessions, OAuth)
- resend_email.py: transactional email

Important:
- Must implement the same interfaces as the mock clients
- Must return data shaped according to jetset/integrations/contracts/*

Switching:
The selection of mock vs real clients happens in jetset/api/main.py only.
"""
