"""NetGraph: force-directed network visual engine."""
