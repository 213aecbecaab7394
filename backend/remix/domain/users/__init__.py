"""User accounts, directory lookups and the relevant-users index."""
