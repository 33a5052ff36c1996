"""taifex_lib.services — Series assembly and the HTTP service."""
