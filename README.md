# leafcharge

Coordinates charging hardware on a Nissan Leaf over CAN bus. It listens on
SocketCAN interfaces, recognises the nodes it knows by their frame
identifiers and drives them:

- `LeafHVBattery` (frame `0x1db`): state of charge, voltage, current and
  power limits of the high-voltage battery. It also reads frame `0x1dc`.
- `LeafOBCharger` (frame `0x390`): the stock onboard charger's status and
  output power in watts.
- `LeafChademoPort` (frame `0x100`): answers the car's CHAdeMO port as a
  charging station (frames `0x108` and `0x109`, every 100 ms) once
  `Param.PLUG_DET` has been seen set.
- `TcCharger` (frames `0x18ff50e7` and `0x18ff50e5`): extra TC chargers.
  Each one is sent its voltage and current limits every second and whenever
  a limit changes.

`TcChargerController` sets the TC chargers' limits every 100 ms from the
battery's power limits and the onboard charger's output power, as soon as a
battery, an onboard charger and at least one TC charger are present. When
any of them goes away it sets the TC chargers to zero output.

`ChargingRelayController` switches the charge flap, CHAdeMO proximity and
two charger-start relays through sysfs GPIO pins 2, 3, 4, 14 and 15, and
chooses between the LIM and the onboard charger (pin 15), every 250 ms.

A node that sends nothing for longer than its timeout (5 s, 1 s for
`LeafChademoPort`) is dropped, and is created again when its first frame is
next seen with an 8-byte payload.

Shared values such as `Param.CCS_STATE`, `Param.UDC` and `Param.PLUG_DET`
live in a `ParamStore` that every node reads and writes. Unset values read
as zero.

## Installing

```
pip install .
```

## Running

On a Linux system with SocketCAN interfaces up and sysfs GPIO available:

```
leafcharge
```

Without arguments it opens every interface listed as CAN under
`/sys/class/net`. Interface names may be given instead, for example
`leafcharge can0`. Options:

- `--net-root DIR`: where network interfaces are listed.
- `--gpio-root DIR`: the sysfs GPIO directory (default `/sys/class/gpio`).
- `-v`, `--verbose`: log debug output, including a dump of the parameters
  every second.

The command runs until it is interrupted. It exits with status 1 if no
CAN interface is found or an interface or GPIO file cannot be opened.

## Using the parts

The DBC-style signal helpers in `leafcharge.canmessageutils` can be used
on their own:

```python
from leafcharge.canmessageutils import parse_field, read_field, write_field

field = parse_field('SG_ MinimumChargeCurrent : 0|8@1+ (1,0) [0|255] "A" Vector__XXX')
data = bytearray(8)
write_field(data, field, 10)
read_field(bytes(data), field)  # 10.0
```

`parse_field` raises `ValueError` for a line it cannot parse;
`parse_fields` skips such lines.

Nodes do not need a live bus. Pass any object with a `write_frame(frame)`
method as the device, feed `CanFrame` values to
`CanBusNodeDetector.frame_received`, and call `tick(now)` on the detector,
the controllers and the nodes to run the periodic work. `build_detector()`
in `leafcharge.app` returns a detector with every supported node type
registered.

## What it does not do

- There is no node for the BMW i3 LIM. Values it would report, such as
  `Param.PLUG_DET`, `Param.PILOT_TYP`, `Param.PILOT_LIM`,
  `Param.CABLE_LIM` and `Param.CCS_STATE`, are read by the relay controller
  and the CHAdeMO port, but nothing in the package sets them; they stay
  zero unless set on the `ParamStore` by other code.
- Parameters are kept in memory only; nothing is stored between runs.
- GPIO access goes through sysfs only.