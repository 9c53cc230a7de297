"""Flask blueprints for Radio Sync"""
