"""Step-list bookkeeping: ordering assignment and the per-project partition."""
