"""Cert Migration Meta information.
   Cert Migration exports and imports managed certificates, certificate files
   and stored credentials as a single encrypted package.
"""
__title__ = 'cert_migration'
__description__ = (
   'Cert Migration exports and imports managed certificates '
   'and stored credentials as an encrypted package.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/cert-migration'
