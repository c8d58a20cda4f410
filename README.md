# sstkit

Helpers for entities that share data under session keys. The package reads
entity configuration files. It seals short messages with AES-128-GCM and
frames them for a byte stream. It keeps keys in two hash-checked slots and
carries out a key-update protocol on the receiving side. It also builds the
messages exchanged with a file system manager when files are shared through
IPFS.

## Modules

### `sstkit.config`

`load_config(path)` reads a file of `key=value` lines. `parse_config(lines)`
does the same for any iterable of lines. Both return a `Config` dataclass.

- Recognised keys include `entityInfo.name`, `entityInfo.purpose`,
  `entityInfo.number_key`, `encryptionMode`, `HmacMode`, `authInfo.id`,
  `authInfo.pubkey.path` and `entityInfo.privkey.path`.
- Address and port keys are `auth.ip.address`, `auth.port.number`,
  `entity.server.ip.address`, `entity.server.port.number`,
  `fileSystemManager.ip.address`, `fileSystemManager.port.number` and
  `network.protocol`.
- `config_key(name)` maps a key name to a `ConfigKey`. A name it does not
  know gives `ConfigKey.UNKNOWN_CONFIG`.
- Defaults: `EncryptionMode.AES_128_CBC` and `HmacMode.USE_HMAC`.
- An `encryptionMode` value other than `AES_128_CBC`, `AES_128_CTR` or
  `AES_128_GCM` is ignored.
- `HmacMode` accepts `on`, `1`, `off` or `0`. Any other value raises
  `ConfigError`.
- At most two purposes are kept. `purpose_index` points at the last one
  kept.
- `ConfigError` is also raised for:
  - an unknown key;
  - a key with no value;
  - a port outside 0–65535;
  - a file that cannot be opened.

### `sstkit.gcm`

- `encrypt_gcm(key, nonce, plaintext)` returns `(ciphertext, tag)`.
- `decrypt_gcm(key, nonce, ciphertext, tag)` returns the plaintext.

Keys are 16 bytes, nonces 12 bytes and tags 16 bytes. A wrong size, or a
tag that does not verify, raises `GcmError`.

### `sstkit.frames`

An encrypted frame has this layout:

```
preamble (2) | 0x02 | nonce (12) | length (2, big-endian) | ciphertext | tag (16)
```

- `build_frame(key, message, nonce=None, preamble=DEFAULT_PREAMBLE)`
  encrypts a message of at most 256 bytes and frames it. If no nonce is
  given, a random one is drawn.
- `Frame` holds `nonce`, `ciphertext` and `tag`. It has
  `decrypt(key)` and `to_bytes(preamble)`.
- `FrameReader(stream, preamble)` resynchronises on the preamble bytes.
  `read_frame()` returns the next `Frame`, or `None` at the end of the
  stream. It raises `FrameError` for a short or over-long frame; the limit
  is 1024 bytes of ciphertext. Iterating over a reader yields frames and
  logs and skips bad ones.
- `build_key_delivery(key)` returns `AB CD` followed by the 16-byte key.
- `receive_key(stream)` waits for that preamble and returns the key. It
  returns `None` if the stream ends first.
- `read_exact(stream, length)` reads until it has `length` bytes or the
  stream ends.

### `sstkit.receiver`

`Receiver(session_key, fetch_key=None, send=None)` processes decrypted
frames with `process_frame(frame, now)`. Each method returns the lines it
reports.

- Nonces are checked against a `NonceHistory` of the last 64 nonces, and a
  replayed nonce is rejected.
- `"I have the key"` sets `stop_sending_key`.
- `"CMD: new key -f"` asks `fetch_key()` for a new key. It sends the key
  with `send()` and waits 5 seconds for `"ACK"`. The ACK makes the pending
  key active.
- `"CMD: new key"` waits for confirmation. It is rate-limited to one
  request every 15 seconds.
- `"CMD: clear key"` zeroes the key. Later frames are then rejected.
- `"CMD: print key receiver"` and `"CMD: print key *"` show the key.
- `check_timeout(now)` returns to `ReceiverState.IDLE` once a wait has
  expired.

### `sstkit.keyslots`

`KeySlotStore(path=None)` models a 4096-byte flash-like region: erasing
sets bytes to `0xFF`, and programming can only clear bits. If a `path` is
given, the region is loaded from that file when the file exists and is
written back after every change.

- Slots `Slot.A` and `Slot.B` each hold a key, its SHA-256 digest and a
  magic word.
- `read_slot` and `write_slot` read and write one slot. `clear_slot` erases
  one slot and `erase_all` erases both.
- `load_session_key()` prefers slot B, then slot A.
- `store_session_key(key)` writes slot B if slot A is valid, and slot A
  otherwise.
- `load_last_used_slot()` and `store_last_used_slot(slot)` record which
  slot was used last.
- `slot_status(current_slot)` and `describe_slot_key(slot)` return text.
- `format_hex(label, data)` and `is_key_zeroed(key)` are helpers.

### `sstkit.commands`

`CommandHandler(store, session_key, current_slot, receive_key, reboot, ...)`
answers the text after `CMD:` through `handle(cmd)` and returns the output
lines. The commands are:

- `print key`
- `print key sender`
- `print key receiver`
- `print key *`
- `print slot key A|B|*`
- `clear slot A|B`
- `use slot A|B`
- `new key`
- `new key -f`
- `slot status`
- `entropy test`
- `reboot`
- `help`

### `sstkit.ipfs`

- `make_upload_request(name, key_id, hash_value)` and
  `make_download_request(name)` build the messages for the file system
  manager.
- `parse_download_response(buf)` splits a reply into
  `(key_id, command)`.
- `available_file_name(name, ext)` returns the first of `name.ext`,
  `name1.ext`, … that does not exist.
- `ipfs_add(file_name, estimate_time)` runs `ipfs add --quiet` and returns
  the content identifier.
- `download_file(received, directory)` runs the download command from a
  response into a fresh `download*.txt` file.
- `upload_to_file_system_manager(host, port, name, key_id, hash_value)`
  sends the upload information over TCP.
- `receive_data_and_download_file(host, port, name, estimate_time)` sends
  the download request over TCP and then runs the download.
- `EstimateTime` collects the time taken by each stage.

Failures raise `IpfsError`.

### `sstkit.paths`

- `change_directory_to_config_path(config_path=None)` changes into the
  directory of a configuration file, or into `../../receiver` if no path is
  given, and returns the new working directory.
- `get_config_path(path=None)` returns the file's base name, or
  `sst.config` if no path is given.

## Examples

Load a configuration:

```python
from sstkit.config import load_config

config = load_config("client.config")
print(config.name, config.encryption_mode)
```

Frame a message and process it on the receiving side:

```python
import io
import os

from sstkit.frames import FrameReader, build_frame
from sstkit.receiver import Receiver

key = os.urandom(16)
wire = build_frame(key, "CMD: print key receiver")
receiver = Receiver(key)
for frame in FrameReader(io.BytesIO(wire)):
    for line in receiver.process_frame(frame, now=0.0):
        print(line)
```

Keep a key in a slot file:

```python
import os

from sstkit.keyslots import KeySlotStore

store = KeySlotStore("keys.bin")
slot = store.store_session_key(os.urandom(16))
print(store.slot_status(slot))
```

## What the package does not do

- It has no command-line programs.
- It does not open serial ports. Framing works on any binary stream.
- It does not request session keys from an authorization server, and does
  not run the secure client/server handshake. Keys are passed in, or come
  from the `fetch_key` and `receive_key` callables you supply.
- It does not encrypt or decrypt whole files for IPFS sharing. `ipfs_add`
  uploads whatever file it is given.

## Requirements

- Python 3.10 or later.
- The `cryptography` distribution.
- For `ipfs_add`, an `ipfs` executable on the `PATH`.