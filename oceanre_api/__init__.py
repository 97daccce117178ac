"""FastAPI application exposing the OceanRe accounting endpoints."""
