"""Carteira: personal investment-portfolio backend."""
