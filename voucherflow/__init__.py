"""Payment-voucher approval and disbursement workflow service."""
