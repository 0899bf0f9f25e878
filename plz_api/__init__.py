"""PLZ Geosearch — Lookup API."""
