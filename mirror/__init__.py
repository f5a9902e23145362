"""
Document-store mirror: schema-driven extraction of warehouse rows.
"""
