"""Bridges to systems outside the pipeline.

crypto_bridge
    OpenSSH ed25519 keys and SSHSIG signatures via PyNaCl.
transport
    ``RemoteStore`` implementations: SSH release host and local directory.
"""
