"""Persistence layer for a self-hosted chat server on ScyllaDB / Cassandra."""
