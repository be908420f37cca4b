"""Snap Wallet Meta information.
   Snap Wallet keeps named key pairs encrypted under a PIN and sends
   SNAP from them through a remote node.
"""
__title__ = 'snap_wallet'
__description__ = (
   'Local-custody SNAP wallet: PIN encrypted key vault '
   'and an interactive send shell.'
)
__version__ = '0.3.0'
__license__ = 'Apache-2.0'
