# Client side: key ownership, handshake, call ordering
