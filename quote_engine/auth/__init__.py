"""Principal verification and role-based authorization."""
