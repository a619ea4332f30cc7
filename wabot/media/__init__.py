"""Media storage, conversion, fetching and the pairing QR code."""
