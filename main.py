"""
Командная строка для кодировщика Хаффмана.
"""

import argparse
import sys
from coding import HuffmanCoding, decode_file, encode_file


def main():
    parser = argparse.ArgumentParser(
        description='Huffman coder for 7-bit ASCII files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py encode input.txt -o input.huf
  python main.py decode input.huf -o decoded.txt
  python main.py codes input.txt
  python main.py stats input.txt
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    encode_parser = subparsers.add_parser('encode', help='Encode a file')
    encode_parser.add_argument('input', help='File to encode')
    encode_parser.add_argument('-o', '--output', required=True, help='Encoded file path')

    decode_parser = subparsers.add_parser('decode', help='Decode a file')
    decode_parser.add_argument('input', help='Encoded file')
    decode_parser.add_argument('-o', '--output', required=True, help='Decoded file path')

    codes_parser = subparsers.add_parser('codes', help='Show code table')
    codes_parser.add_argument('input', help='File to analyse')

    stats_parser = subparsers.add_parser('stats', help='Show coding statistics')
    stats_parser.add_argument('input', help='File to analyse')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    try:
        if args.command == 'encode':
            if encode_file(args.input, args.output) is None:
                sys.exit(1)

        elif args.command == 'decode':
            if not decode_file(args.input, args.output):
                sys.exit(1)

        elif args.command == 'codes':
            HuffmanCoding(args.input).show_codes()

        elif args.command == 'stats':
            HuffmanCoding(args.input).stats().print_stats()

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
