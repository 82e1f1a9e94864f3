"""Configuration and console helpers for the csm-node command line."""
