"""Authentication core of the `passgate` app.

Views stay thin: request parsing and response shaping happen there, every
protocol decision lives in these modules.
"""
