"""HTTP adapter for the equation builder and tutor."""
