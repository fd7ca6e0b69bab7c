"""G2G MRI department records API."""
