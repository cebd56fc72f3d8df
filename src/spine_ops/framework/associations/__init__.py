"""Association fields: entity references stored as key/type component fields."""
