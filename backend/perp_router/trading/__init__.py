"""
Trade routing

TradeRouter (router.py) quotes, executes and closes trades using the
Decimal helpers in economics.py. Request models live in schemas.py.
"""
