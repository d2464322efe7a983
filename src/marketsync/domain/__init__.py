"""Pure reconciliation domain: model, policies and services without I/O."""
