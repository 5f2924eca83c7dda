"""
REST adapters for market data providers (Finnhub, Financial Modeling Prep).

Import concrete clients from their modules:
    from chartwallet.adapters.finnhub_rest import FinnhubQuoteClient
    from chartwallet.adapters.fmp import FMPClient
"""
