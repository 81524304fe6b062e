"""NFT Fractionalizer test suite."""
