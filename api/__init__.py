"""HTTP surface for the client ranking engine."""
