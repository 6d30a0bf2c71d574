"""Service layer for isobox."""
