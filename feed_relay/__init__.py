"""Runtime for the fill feed: ledger polling, decoding and publishing."""
