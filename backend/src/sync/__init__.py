"""Client-side synchronization: live collections, filtering and session state."""
