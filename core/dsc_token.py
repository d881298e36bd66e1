"""
Decentralized Stable Coin Model for the DSC Protocol.

This module simulates the DSC token, the protocol's stablecoin. Only its owner
(the DSCEngine) may mint, and `burn` destroys tokens held by the owner, so the
engine first pulls DSC from a user and then burns it.
"""


class DecentralizedStableCoin:
    """
    Simulates the DSC token contract.

    Non-positive amounts raise ValueError. Insufficient balances and calls from
    anyone but the owner return False, which the engine turns into a
    TransferFailed or MintFailed.
    """

    def __init__(self, owner=None, initial_supply=0):
        # Total token supply
        self.total_supply = initial_supply

        # Mapping of addresses to token balances
        self.balances = {}

        # Owner of the contract, the only account allowed to mint and burn
        self.owner = owner

    def set_owner(self, owner):
        """Sets the owner of the contract."""
        self.owner = owner

    def balance_of(self, account):
        """Returns the token balance of the given account."""
        return self.balances.get(account, 0)

    def transfer(self, sender, recipient, amount):
        """
        Transfers tokens from sender to recipient.

        Args:
            sender: Address sending the tokens
            recipient: Address receiving the tokens
            amount: Amount of tokens to transfer

        Returns:
            True if successful, False if the sender's balance is too low
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        sender_balance = self.balances.get(sender, 0)

        if sender_balance < amount:
            return False

        # Update balances
        self.balances[sender] = sender_balance - amount
        self.balances[recipient] = self.balances.get(recipient, 0) + amount

        return True

    def transfer_from(self, sender, recipient, amount):
        """
        Moves tokens from sender to recipient on the recipient's behalf.
        Used by the engine to pull DSC before burning it.
        """
        return self.transfer(sender, recipient, amount)

    def mint(self, recipient, amount, minter=None):
        """
        Mints new tokens to the recipient account.
        Only callable by the owner.

        Args:
            recipient: Address receiving the minted tokens
            amount: Amount of tokens to mint
            minter: Address requesting the mint, defaults to the owner

        Returns:
            True if successful
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        if self.owner is None or (minter is not None and minter != self.owner):
            return False

        # Update recipient balance
        self.balances[recipient] = self.balances.get(recipient, 0) + amount

        # Update total supply
        self.total_supply += amount

        return True

    def burn(self, amount):
        """
        Burns tokens held by the owner.

        Returns:
            True if successful, False if the owner holds less than amount
        """
        if amount <= 0:
            raise ValueError("Amount must be greater than zero")

        owner_balance = self.balances.get(self.owner, 0)

        if owner_balance < amount:
            return False

        # Update balance
        self.balances[self.owner] = owner_balance - amount

        # Update total supply
        self.total_supply -= amount

        return True
