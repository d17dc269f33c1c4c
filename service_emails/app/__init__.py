"""
Emails Service package for the Sentimatrix Access Layer.

Serves classified email records and derived counts from a document store,
with a cache-aside layer absorbing read load:

- app.service: accessor operations (list, get, filter, count, mutations).
- app.cache: cache-aside layer, expiration policy, codecs and store backends.
- app.persistence: PostgreSQL and in-memory document stores.
- app.main: construction of the service from configuration.

Guidelines:
- The cache is an optimisation only; its failures never reach callers.
- Only aggregates are cached; every mutation invalidates all of them.
"""
