# portfolio_tracker/services/market_data/kraken_assets.py
"""
Crypto assets listed on Kraken, used for offline symbol search.

Kraken's public API has no free-text search, so search runs against this
list. Some codes appear under more than one name (ETH as "Ether" and
"Ethereum"); the first name listed is the display name.
"""

KRAKEN_ASSETS: tuple[tuple[str, str], ...] = (
    ("0x", "ZRX"),
    ("1inch", "1INCH"),
    ("Aave", "AAVE"),
    ("Acala", "ACA"),
    ("Algorand", "ALGO"),
    ("Ankr", "ANKR"),
    ("ApeCoin", "APE"),
    ("Aptos", "APT"),
    ("Arbitrum", "ARB"),
    ("Arweave", "AR"),
    ("Astar", "ASTR"),
    ("Audius", "AUDIO"),
    ("Avalanche", "AVAX"),
    ("Axie Infinity", "AXS"),
    ("Badger DAO", "BADGER"),
    ("Balancer", "BAL"),
    ("Bancor", "BNT"),
    ("Band Protocol", "BAND"),
    ("Basic Attention Token", "BAT"),
    ("Beam", "BEAM"),
    ("Berachain", "BERA"),
    ("Biconomy", "BICO"),
    ("Bitcoin", "BTC"),
    ("Bitcoin Cash", "BCH"),
    ("Bittensor", "TAO"),
    ("Blur", "BLUR"),
    ("BNB", "BNB"),
    ("Bonfida", "FIDA"),
    ("Bonk", "BONK"),
    ("Cardano", "ADA"),
    ("Cartesi", "CTSI"),
    ("Celer Network", "CELR"),
    ("Celestia", "TIA"),
    ("Celo", "CELO"),
    ("Centrifuge", "CFG"),
    ("Chainlink", "LINK"),
    ("Chiliz", "CHZ"),
    ("Chromia", "CHR"),
    ("Civic", "CVC"),
    ("Compound", "COMP"),
    ("Convex Finance", "CVX"),
    ("Cosmos", "ATOM"),
    ("Cronos", "CRO"),
    ("Curve", "CRV"),
    ("Dai", "DAI"),
    ("Dash", "DASH"),
    ("Decentraland", "MANA"),
    ("Degen", "DEGEN"),
    ("Dogecoin", "DOGE"),
    ("Dogwifhat", "WIF"),
    ("Drift Protocol", "DRIFT"),
    ("dYdX", "DYDX"),
    ("Dymension", "DYM"),
    ("EigenLayer", "EIGEN"),
    ("Enjin Coin", "ENJ"),
    ("EOS", "EOS"),
    ("Ethena", "ENA"),
    ("Ether", "ETH"),
    ("Ethereum", "ETH"),
    ("Ethereum Classic", "ETC"),
    ("Ethereum Name Service", "ENS"),
    ("Fetch.ai", "FET"),
    ("Filecoin", "FIL"),
    ("Flare", "FLR"),
    ("Floki", "FLOKI"),
    ("Flow", "FLOW"),
    ("Flux", "FLUX"),
    ("Frax Share", "FXS"),
    ("Gala Games", "GALA"),
    ("Gitcoin", "GTC"),
    ("GMX", "GMX"),
    ("Gnosis", "GNO"),
    ("Grass", "GRASS"),
    ("The Graph", "GRT"),
    ("Hamster Kombat", "HMSTR"),
    ("Hedera", "HBAR"),
    ("Helium", "HNT"),
    ("Immutable X", "IMX"),
    ("Injective Protocol", "INJ"),
    ("Internet Computer", "ICP"),
    ("Jasmy", "JASMY"),
    ("Jito", "JTO"),
    ("Jupiter", "JUP"),
    ("Kamino", "KMNO"),
    ("Kaspa", "KAS"),
    ("Kava", "KAVA"),
    ("Kusama", "KSM"),
    ("Kyber Network", "KNC"),
    ("Lido DAO", "LDO"),
    ("Linea", "LINEA"),
    ("Liquity", "LQTY"),
    ("Lisk", "LSK"),
    ("Litecoin", "LTC"),
    ("Livepeer", "LPT"),
    ("Loopring", "LRC"),
    ("Magic Eden", "ME"),
    ("Maker", "MKR"),
    ("Mantle", "MNT"),
    ("Marinade SOL", "MSOL"),
    ("Mask Network", "MASK"),
    ("Memecoin", "MEME"),
    ("Mina", "MINA"),
    ("Monero", "XMR"),
    ("Moo Deng", "MOODENG"),
    ("Moonbeam", "GLMR"),
    ("Moonriver", "MOVR"),
    ("Morpho", "MORPHO"),
    ("Movement", "MOVE"),
    ("MultiversX", "EGLD"),
    ("Nano", "NANO"),
    ("Near Protocol", "NEAR"),
    ("Neiro", "NEIRO"),
    ("Notcoin", "NOT"),
    ("Ocean", "OCEAN"),
    ("Official Trump", "TRUMP"),
    ("OMG Network", "OMG"),
    ("Ondo", "ONDO"),
    ("Optimism", "OP"),
    ("Orca", "ORCA"),
    ("Orchid", "OXT"),
    ("Osmosis", "OSMO"),
    ("PancakeSwap", "CAKE"),
    ("PAX Gold", "PAXG"),
    ("Peanut the squirrel", "PNUT"),
    ("Pendle", "PENDLE"),
    ("Pepe", "PEPE"),
    ("Perpetual Protocol", "PERP"),
    ("Polkadot", "DOT"),
    ("Polygon", "POL"),
    ("Ponke", "PONKE"),
    ("Popcat", "POPCAT"),
    ("Pudgy Penguins", "PENGU"),
    ("Pyth Network", "PYTH"),
    ("Qtum", "QTUM"),
    ("Quant", "QNT"),
    ("Raydium", "RAY"),
    ("Render", "RENDER"),
    ("Ripple", "XRP"),
    ("Rocket Pool", "RPL"),
    ("The Sandbox", "SAND"),
    ("Secret", "SCRT"),
    ("Sei", "SEI"),
    ("Shiba Inu", "SHIB"),
    ("Siacoin", "SC"),
    ("Solana", "SOL"),
    ("Stacks", "STX"),
    ("Stargate Finance", "STG"),
    ("Starknet Token", "STRK"),
    ("Stellar Lumens", "XLM"),
    ("Stellar", "XLM"),
    ("Storj", "STORJ"),
    ("Story", "IP"),
    ("Sui", "SUI"),
    ("Sushi", "SUSHI"),
    ("Synthetix", "SNX"),
    ("Tensor", "TNSR"),
    ("Terra 2.0", "LUNA2"),
    ("Terra Classic", "LUNA"),
    ("Tether", "USDT"),
    ("Tether Gold", "XAUT"),
    ("Tezos", "XTZ"),
    ("Thorchain", "RUNE"),
    ("Toncoin", "TON"),
    ("Tron", "TRX"),
    ("Turbo", "TURBO"),
    ("Uniswap", "UNI"),
    ("USD Coin", "USDC"),
    ("Worldcoin", "WLD"),
    ("Wormhole", "W"),
    ("Wrapped Bitcoin", "WBTC"),
    ("Yearn Finance", "YFI"),
    ("Zcash", "ZEC"),
    ("Zetachain", "ZETA"),
    ("Zircuit", "ZRC"),
)
