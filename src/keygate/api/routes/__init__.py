"""HTTP routes behind the authentication gate."""
