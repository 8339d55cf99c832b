"""Pure audit-pack logic: lineage closure, evidence normalization, bundle assembly."""
