"""spine-ops framework: fields, params, associations, outputs, validation and ops."""
