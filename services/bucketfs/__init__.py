"""bucketfs: buffered file-like handles over an object-storage bucket."""

__version__ = "0.1.0"
