"""Task graph construction and analysis.

Functions here build a TaskGraph and derive depth, critical path, topological
order and the leveled execution plan from it. Only the builder writes to
nodes; the rest read them.
Malformed graphs (cycles, dangling ids) are logged and handled with a
deterministic fallback instead of raising.
"""
