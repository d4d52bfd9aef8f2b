# securechat

A two-party chat for the terminal that runs over a single TCP connection.
The two sides run a Diffie-Hellman exchange and sign their public keys with
long-term keys held in PEM files. RSA, EC and DSA keys are supported, and
signatures use SHA-256. Every message is then encrypted with AES-256-CTR and
protected with HMAC-SHA256, both under the 32-byte key that the exchange
derives.

## Installing

```
pip install .
```

To run the tests as well:

```
pip install .[test]
pytest
```

## Files the chat expects

These files must be in the working directory:

- `params` holds the Diffie-Hellman group, written as
  ```
  q = <decimal>
  p = <decimal>
  g = <decimal>
  ```
  The file is checked on load. `q` must be prime and `p` must be prime.
  `q` must divide `p - 1`, but `q²` must not. `g` must generate the
  subgroup of order `q`. Loading fails with `DHParamsError` if any of these
  checks fails. `securechat.dh.generate_params(qbits, pbits)` produces a
  fresh set of parameters.
- `alice_priv.pem` and `bob_pub.pem` are needed by the side that connects.
- `bob_priv.pem` and `alice_pub.pem` are needed by the side that listens.

The chat reads `params` before it looks at its options. Without that file,
even `--help` exits with status 1.

## Chatting

On one machine, start the listener:

```
securechat --listen --port 1337
```

On the other, connect to it:

```
securechat --connect HOST --port 1337
```

| Option              | Meaning                                       |
|---------------------|-----------------------------------------------|
| `-c, --connect HOST`| Connect to `HOST` (defaults to `localhost`).  |
| `-l, --listen`      | Wait for one incoming connection.             |
| `-p, --port PORT`   | Port to listen or connect on (default 1337).  |
| `-h, --help`        | Show usage and exit.                          |

After the handshake succeeds, each side prints
`Client: Shared key established.` or `Server: Shared key established.`.
From then on, each line read from standard input is sent to the peer and
echoed locally as `me: ...`. Incoming messages are printed as
`mr. friend: ...`.

On the wire, each message is `IV (16 bytes) || ciphertext || HMAC (32 bytes)`.
A message whose HMAC does not match is not shown. In its place the chat
prints `WARNING: Message failed integrity check.`. When the peer disconnects,
the chat prints `Receiver disconnected.`.

## Demonstrations

```
securechat-dh-example [PARAMS_FILE]
```

This reads the parameter file (`params` by default). It then runs a plain
DH exchange and a 3DH exchange between two generated parties. For each
exchange it prints both parties' 128-byte keys and reports whether they
agree.

```
securechat-crypto-examples
```

This works on a fixed test message. It prints the result of AES-256-CTR
encryption followed by byte-by-byte decryption, the SHA-256 hash and the
HMAC-SHA512.

## Library use

```python
from securechat.dh import load_params

params = load_params("params")
alice = params.gen_key("alice")
bob = params.gen_key("bob")
k1 = params.final(alice.sk, alice.pk, bob.pk, 32)
k2 = params.final(bob.sk, bob.pk, alice.pk, 32)
assert k1 == k2
```

- **`securechat.dh`**
  - `DHParams` offers `validate`, `gen`, `gen_key`, `final`, `final3` and
    `final3_keys`. Key derivation is HKDF-style over HMAC-SHA512.
  - `parse_params`, `load_params` and `generate_params` create parameter
    sets.
- **`securechat.channel`**
  - `encrypt_message` and `decrypt_message` produce and read the message
    format. `decrypt_message` raises `IntegrityError` when authentication
    fails.
  - `SecureChannel` wraps a connected socket and provides `send`, `receive`
    and `close`. It can also be used as a context manager.
  - `listen` and `connect` open the TCP connection.
- **`securechat.auth`**
  - `sign_dh_pubkey` and `verify_dh_pubkey` sign and check a DH public key.
  - `send_dh_pubkey_with_sig` and `recv_dh_pubkey_with_sig` exchange a key
    and its signature. Each field on the wire carries a 2-byte big-endian
    length prefix.
- **`securechat.chat`**
  - `handshake(sock, params, is_client)` runs the signed exchange and
    returns the shared key.
  - `parse_args` and `usage` handle the command line.
- **`securechat.keys`**
  - `DHKey` holds a name and a key pair.
  - `write_dh` and `read_dh` save and load keys as text files. The secret
    file has mode 0600 and the public part is written to `<name>.pub`.
  - `hash_pk` gives a SHA-256 hex digest of a public key.
- **`securechat.util`** provides little-endian integer/byte conversion,
  Miller-Rabin primality testing and length-prefixed integer serialization.

## What it does not do

- There is no graphical window. The chat reads from standard input and
  writes to standard output.
- The package does not create the PEM signing keys. They must be made with
  other tools.
- There is no command that writes a new `params` file.
  `generate_params` returns the values, and saving them is up to the caller.
- A listener accepts a single connection and then stops listening.