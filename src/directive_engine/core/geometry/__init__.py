"""Vector and quaternion arithmetic on plain tuples."""
