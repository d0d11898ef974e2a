"""
Ingestion layer: token exchange, upstream clients, source adapters and snapshot persistence.

Submodules:
  token        OAuth2 client-credentials exchange
  osu_client   osu! web API (v2) JSON client plus public HTML fetches
  adapters     Source strategies tried by the resolver in priority order
  snapshot     Atomic ``leaderboard.json`` writer and reader

Credential placement (.env, gitignored):
  OSU_CLIENT_ID       osu! OAuth application id (integer)
  OSU_CLIENT_SECRET   osu! OAuth application secret
"""
