"""Query contract, HTTP transport and client."""
