"""
A thin client for the Google Sheets REST API, plus spreadsheet export via Drive.
The goal is to keep the calls simple: address a spreadsheet by id or by its
shareable link, give a sheet name and/or A1 range, and get back an envelope
of ok/data/error instead of exceptions.

Authentication is handled by google-auth (cached OAuth user credentials,
installed app flow, service accounts or application defaults) and requests
go out over a requests session with backoff retries.
"""
