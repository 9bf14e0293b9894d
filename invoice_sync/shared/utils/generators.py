from cuid2 import cuid_wrapper

# Row ids for integrations and attachments
_new_row_id = cuid_wrapper()


def generate_cuid() -> str:
    """Primary key for a new integration or attachment row"""
    return _new_row_id()
