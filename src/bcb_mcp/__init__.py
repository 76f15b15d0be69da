"""
BCB Payments MCP Server - Model Context Protocol gateway for Banco Central do Brasil.

Provides MCP tools for querying the "Meios de Pagamento" open data (PIX, cards,
ATMs, interchange and discount rates) via the BCB Olinda OData service.
"""

from dotenv import load_dotenv

# Load environment variables from .env file before settings are read
load_dotenv()

__version__ = "1.0.0"
