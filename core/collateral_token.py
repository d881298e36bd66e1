"""
Collateral Token Model for the DSC Protocol.

This module simulates the exogenous collateral tokens (wETH, wBTC, ...) and
the gateway the DSCEngine uses to move them. The gateway keeps custody of
deposited collateral under the engine's account id, in the same way the
ActivePool holds collateral for every open position.
"""


class CollateralToken:
    """
    ERC20-like collateral token with a faucet mint.
    """

    def __init__(self, symbol, decimals=18):
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances = {}  # address -> amount

    def balance_of(self, account):
        return self.balances.get(account, 0)

    def mint(self, recipient, amount):
        """Faucet: creates tokens out of thin air for simulations."""
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        self.total_supply += amount
        return True

    def transfer(self, sender, recipient, amount):
        """
        Transfers tokens between accounts.

        Returns:
            True if successful, False if the sender's balance is too low
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        sender_balance = self.balances.get(sender, 0)
        if sender_balance < amount:
            return False

        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount
        return True

    def transfer_from(self, sender, recipient, amount):
        return self.transfer(sender, recipient, amount)


class TokenTransferGateway:
    """
    Routes asset identifiers to their tokens on behalf of a custodian.

    `transfer_in` pulls collateral from a user into custody, `transfer_out`
    pays collateral held in custody to a recipient.
    """

    def __init__(self, custodian, tokens=None):
        self.custodian = custodian
        self.tokens = dict(tokens or {})

    def add_token(self, asset, token):
        self.tokens[asset] = token

    def token(self, asset):
        if asset not in self.tokens:
            raise ValueError(f"No token registered for asset {asset}")
        return self.tokens[asset]

    def transfer_in(self, asset, sender, recipient, amount):
        """Moves collateral from sender to recipient (normally the custodian)."""
        return self.token(asset).transfer_from(sender, recipient, amount)

    def transfer_out(self, asset, recipient, amount):
        """Pays collateral out of custody."""
        return self.token(asset).transfer(self.custodian, recipient, amount)

    def custody_balance(self, asset):
        """Returns how much of the asset the custodian holds."""
        return self.token(asset).balance_of(self.custodian)
