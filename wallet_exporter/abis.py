"""Minimal contract ABIs for the calls the exporter makes."""

PDP_PRODUCT_TYPE = 0

_PROVIDER_INFO_COMPONENTS = [
    {"name": "serviceProvider", "type": "address"},
    {"name": "payee", "type": "address"},
    {"name": "name", "type": "string"},
    {"name": "description", "type": "string"},
    {"name": "isActive", "type": "bool"},
]

ERC20_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]

WARM_STORAGE_ABI = [
    {
        "inputs": [],
        "name": "viewContractAddress",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "serviceProviderRegistry",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]

WARM_STORAGE_VIEW_ABI = [
    {
        "inputs": [
            {"name": "offset", "type": "uint256"},
            {"name": "limit", "type": "uint256"}
        ],
        "name": "getApprovedProviders",
        "outputs": [{"name": "providerIds", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function"
    }
]

SERVICE_PROVIDER_REGISTRY_ABI = [
    {
        "inputs": [],
        "name": "getProviderCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "providerId", "type": "uint256"}],
        "name": "getProvider",
        "outputs": [
            {
                "name": "info",
                "type": "tuple",
                "components": [
                    {"name": "providerId", "type": "uint256"},
                    {"name": "info", "type": "tuple", "components": _PROVIDER_INFO_COMPONENTS}
                ]
            }
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "providerId", "type": "uint256"},
            {"name": "productType", "type": "uint8"}
        ],
        "name": "getProviderWithProduct",
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "providerId", "type": "uint256"},
                    {"name": "providerInfo", "type": "tuple", "components": _PROVIDER_INFO_COMPONENTS},
                    {
                        "name": "product",
                        "type": "tuple",
                        "components": [
                            {"name": "productType", "type": "uint8"},
                            {"name": "productData", "type": "bytes"},
                            {"name": "capabilityKeys", "type": "string[]"},
                            {"name": "isActive", "type": "bool"}
                        ]
                    },
                    {"name": "productCapabilityValues", "type": "bytes[]"}
                ]
            }
        ],
        "stateMutability": "view",
        "type": "function"
    }
]

PAYMENTS_ABI = [
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "owner", "type": "address"}
        ],
        "name": "getAccountInfoIfSettled",
        "outputs": [
            {"name": "fundedUntilEpoch", "type": "uint256"},
            {"name": "currentFunds", "type": "uint256"},
            {"name": "availableFunds", "type": "uint256"},
            {"name": "currentLockupRate", "type": "uint256"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]
