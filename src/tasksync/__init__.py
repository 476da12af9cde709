"""Task manager client: Firebase Auth + Cloud Firestore, with an offline backend."""

__version__ = "0.1.0"
