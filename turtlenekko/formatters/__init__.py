from .formatter import format_json, format_text, format_csv, write_to_file, to_records, to_dataframe

__all__ = ["format_json", "format_text", "format_csv", "write_to_file", "to_records", "to_dataframe"]
