"""Schema-versioned quiz artifacts, storage adapters and spreadsheet interchange."""
