"""Driver transports, the JSON protocol connection and the remote object graph."""
