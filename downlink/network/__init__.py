"""Player connections and the trace-back that follows them."""
