"""Background workers of the PR monitor."""
