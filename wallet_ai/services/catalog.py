"""
E-book catalog. Hardcoded for now; prices in USDC, 0.10 to 0.20.
"""

from decimal import Decimal
from typing import Optional

from ..models import EBook

_CATALOG: list[EBook] = [
    EBook(id="1", title="The Art of Programming", author="John Doe", price=Decimal("0.15"),
          description="A comprehensive guide to programming fundamentals and best practices.",
          category="Programming"),
    EBook(id="2", title="Web3 Fundamentals", author="Jane Smith", price=Decimal("0.12"),
          description="Learn the basics of Web3, blockchain, and decentralized applications.",
          category="Web3"),
    EBook(id="3", title="AI and Machine Learning", author="Bob Wilson", price=Decimal("0.18"),
          description="An introduction to artificial intelligence and machine learning concepts.",
          category="AI/ML"),
    EBook(id="4", title="Blockchain Basics", author="Alice Johnson", price=Decimal("0.10"),
          description="Understanding blockchain technology from the ground up.",
          category="Blockchain"),
    EBook(id="5", title="Smart Contracts Guide", author="Charlie Brown", price=Decimal("0.16"),
          description="Learn how to write and deploy smart contracts on various blockchains.",
          category="Blockchain"),
    EBook(id="6", title="Cryptocurrency Explained", author="Diana Prince", price=Decimal("0.14"),
          description="A beginner-friendly guide to cryptocurrencies and digital assets.",
          category="Finance"),
    EBook(id="7", title="DeFi Fundamentals", author="Edward Norton", price=Decimal("0.17"),
          description="Explore decentralized finance protocols and applications.",
          category="DeFi"),
    EBook(id="8", title="NFTs and Digital Art", author="Fiona Apple", price=Decimal("0.13"),
          description="Understanding NFTs, digital ownership, and the creator economy.",
          category="NFTs"),
    EBook(id="9", title="Ethereum Development", author="George Lucas", price=Decimal("0.19"),
          description="Complete guide to building on the Ethereum blockchain.",
          category="Development"),
    EBook(id="10", title="Solidity Programming", author="Helen Mirren", price=Decimal("0.15"),
          description="Master Solidity for Ethereum smart contract development.",
          category="Programming"),
    EBook(id="11", title="Cryptography Essentials", author="Ian McKellen", price=Decimal("0.11"),
          description="Learn the cryptographic principles behind blockchain security.",
          category="Security"),
    EBook(id="12", title="Tokenomics Design", author="Julia Roberts", price=Decimal("0.20"),
          description="Design effective token economics for your blockchain project.",
          category="Economics"),
    EBook(id="13", title="Layer 2 Solutions", author="Kevin Spacey", price=Decimal("0.16"),
          description="Understanding scaling solutions like rollups and sidechains.",
          category="Blockchain"),
    EBook(id="14", title="DAO Governance", author="Laura Linney", price=Decimal("0.14"),
          description="How decentralized autonomous organizations work and operate.",
          category="Governance"),
    EBook(id="15", title="Web3 Security Best Practices", author="Michael Caine", price=Decimal("0.18"),
          description="Essential security practices for Web3 developers and users.",
          category="Security"),
    EBook(id="16", title="Decentralized Storage", author="Natalie Portman", price=Decimal("0.12"),
          description="Exploring IPFS, Arweave, and other decentralized storage solutions.",
          category="Infrastructure"),
    EBook(id="17", title="Cross-Chain Bridges", author="Oscar Isaac", price=Decimal("0.17"),
          description="Understanding how assets move between different blockchains.",
          category="Blockchain"),
    EBook(id="18", title="Crypto Trading Strategies", author="Penelope Cruz", price=Decimal("0.19"),
          description="Advanced trading strategies for cryptocurrency markets.",
          category="Trading"),
    EBook(id="19", title="Staking and Yield Farming", author="Quentin Tarantino", price=Decimal("0.15"),
          description="Maximize returns through staking and yield farming protocols.",
          category="DeFi"),
    EBook(id="20", title="Metaverse Development", author="Rachel Weisz", price=Decimal("0.13"),
          description="Building virtual worlds and experiences in the metaverse.",
          category="Development"),
]


def all_items() -> list[EBook]:
    return list(_CATALOG)


def find_item(item_id: str) -> Optional[EBook]:
    item_id = str(item_id).strip()
    return next((b for b in _CATALOG if b.id == item_id), None)


def search_items(query: str) -> list[EBook]:
    """Case-insensitive match on title, author, description or category."""
    q = query.strip().lower()
    if not q:
        return []
    return [
        b for b in _CATALOG
        if q in b.title.lower()
        or q in b.author.lower()
        or q in b.description.lower()
        or (b.category and q in b.category.lower())
    ]


def get_price(item_id: str) -> Optional[Decimal]:
    item = find_item(item_id)
    return item.price if item else None
